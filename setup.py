"""Setup configuration for imgoptimizer."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="imgoptimizer",
    version="0.1.0",
    description="Image conversion and AI-assisted OCR/summaries for Markdown notes",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={"imgoptimizer": ["assets/*.json"]},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "imgoptimizer=imgoptimizer.cli:main",
        ]
    },
    install_requires=[
        "Pillow>=9.1",
        "cryptography>=3.4",
    ],
    extras_require={
        # Upload converted images to an S3-compatible bucket instead of keeping them local.
        "s3": ["boto3"],
    },
)
