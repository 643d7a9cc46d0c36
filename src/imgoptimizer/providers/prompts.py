from __future__ import annotations

from typing import Dict, Optional

from ..types import PromptMode


USER = "user"
SYSTEM = "system"


_OCR_DEFAULT = (
    "Convert the image to Markdown, including all content with appropriate formatting: e.g., headers, "
    "footers, lists, emphasis, tables. For mathematical expressions, must convert them to LaTeX format, "
    "encapsulating them in $...$ for inline math or $$...$$ for display math, as appropriate. Preserve the "
    "content's logical flow and structure. The output must be pure Markdown, no explanations or code fences. "
    "Must include all content from the image."
)

_OCR_LLAMA = (
    "Transcribe the image as pure Markdown. Write math as LaTeX in $...$ (inline) or $$...$$ (display). "
    "Output only the Markdown, with no explanations or code fences."
)

_SUMMARIZE = (
    "Summarize the provided Markdown text into concise, key bullet points. Focus on capturing the main ideas, "
    "key steps, or critical information. Aim for brevity, while retaining the essential meaning."
)

OCR_PROMPTS: Dict[str, Dict[PromptMode, str]] = {
    USER: {PromptMode.DEFAULT: _OCR_DEFAULT, PromptMode.LLAMA: _OCR_LLAMA},
}

SUMMARIZE_PROMPTS: Dict[str, Dict[PromptMode, str]] = {
    USER: {PromptMode.DEFAULT: _SUMMARIZE},
    SYSTEM: {PromptMode.DEFAULT: _SUMMARIZE},
}


def _pick(table: Dict[str, Dict[PromptMode, str]], role: str, mode: Optional[PromptMode]) -> str:
    mode = PromptMode(mode) if mode is not None else PromptMode.DEFAULT
    by_mode = table.get(role) or {}
    prompt = by_mode.get(mode)
    if prompt is None:
        prompt = table[USER][PromptMode.DEFAULT]
    return prompt


def ocr_prompt(role: str = USER, mode: Optional[PromptMode] = None) -> str:
    return _pick(OCR_PROMPTS, role, mode)


def wrap_document(original_text: str) -> str:
    return f"Here is a Markdown document you will process (wrapped by tag <doc>): \n<doc>{original_text}</doc> \n"


def summarize_prompt(original_text: str, role: str = USER, mode: Optional[PromptMode] = None) -> str:
    """User role embeds the document in `<doc>` tags; other roles get the bare instruction."""
    prompt = _pick(SUMMARIZE_PROMPTS, role, mode)
    if role == USER:
        return wrap_document(original_text) + prompt
    return prompt
