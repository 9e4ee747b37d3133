"""Prompt templating helpers.

Each writing action maps to one fixed template. Placeholders are replaced
once, at their first occurrence, so a template must not repeat a placeholder.
"""
from __future__ import annotations
from types import MappingProxyType
from typing import Mapping

from ai_stream_gateway.common.errors import UnsupportedActionError
from ai_stream_gateway.common.schema import AiAction

PROMPT_TEMPLATES: Mapping[AiAction, str] = MappingProxyType({
    AiAction.IMPROVE_WRITING: (
        "You are an expert writing assistant. Improve the following text to make it clearer, "
        "more engaging, and well-structured while maintaining the original meaning. "
        "Keep the same language as the input.\n\n"
        "Text to improve:\n{content}\n\n"
        "Provide only the improved text without any explanations or comments."
    ),
    AiAction.FIX_SPELLING_GRAMMAR: (
        "You are an expert editor. Fix all spelling, grammar, and punctuation errors in the "
        "following text. Keep the same language as the input.\n\n"
        "Text to fix:\n{content}\n\n"
        "Provide only the corrected text without any explanations or comments."
    ),
    AiAction.MAKE_SHORTER: (
        "You are an expert editor. Condense the following text to be more concise while "
        "preserving the key information and meaning. Keep the same language as the input.\n\n"
        "Text to shorten:\n{content}\n\n"
        "Provide only the shortened text without any explanations or comments."
    ),
    AiAction.MAKE_LONGER: (
        "You are an expert writer. Expand the following text with more details, examples, and "
        "explanations while maintaining the same meaning and style. "
        "Keep the same language as the input.\n\n"
        "Text to expand:\n{content}\n\n"
        "Provide only the expanded text without any explanations or comments."
    ),
    AiAction.SIMPLIFY: (
        "You are an expert at simplifying complex content. Rewrite the following text in "
        "simpler terms that anyone can understand. Keep the same language as the input.\n\n"
        "Text to simplify:\n{content}\n\n"
        "Provide only the simplified text without any explanations or comments."
    ),
    AiAction.CHANGE_TONE: (
        "You are an expert writer. Rewrite the following text with a {tone} tone. "
        "Keep the same language as the input.\n\n"
        "Text to rewrite:\n{content}\n\n"
        "Provide only the rewritten text without any explanations or comments."
    ),
    AiAction.SUMMARIZE: (
        "You are an expert at summarizing content. Create a clear and concise summary of the "
        "following text that captures the main points. Keep the same language as the input.\n\n"
        "Text to summarize:\n{content}\n\n"
        "Provide only the summary without any explanations or comments."
    ),
    AiAction.CONTINUE_WRITING: (
        "You are an expert writer. Continue writing from where the following text ends, "
        "matching the same style, tone, and context. Keep the same language as the input.\n\n"
        "Text to continue:\n{content}\n\n"
        "Provide only the continuation without any explanations or comments."
    ),
    AiAction.TRANSLATE: (
        "You are an expert translator. Translate the following text into {targetLanguage}. "
        "Maintain the original meaning, tone, and style.\n\n"
        "Text to translate:\n{content}\n\n"
        "Provide only the translation without any explanations or comments."
    ),
    AiAction.TO_CHECKLIST: (
        "You are an expert at organizing information. Turn the following text into a checklist "
        "of concrete, actionable items, one per line, each starting with \"- [ ] \". "
        "Keep the same language as the input.\n\n"
        "Text to convert:\n{content}\n\n"
        "Provide only the checklist without any explanations or comments."
    ),
    AiAction.CUSTOM: (
        "{prompt}\n\n"
        "Content:\n{content}\n\n"
        "Provide your response without any explanations or meta-comments."
    ),
})


def render_prompt(
    action: AiAction | str,
    content: str,
    *,
    prompt: str | None = None,
    target_language: str | None = None,
    tone: str | None = None,
    templates: Mapping[AiAction, str] = PROMPT_TEMPLATES,
) -> str:
    """
    Render raw text and optional modifiers into the template for an action.

    Args:
        action: Writing action selecting the template.
        content: Subject text, always substituted.
        prompt: Free-form instruction for ``custom``.
        target_language: Language for ``translate``.
        tone: Tone for ``change_tone``.
        templates: Template table; defaults to the built-in one.

    Returns:
        Rendered prompt, sent verbatim to the backend.
    """
    try:
        template = templates[AiAction(action)]
    except (KeyError, ValueError):
        raise UnsupportedActionError(f"Unsupported AI action: {action}") from None

    rendered = template.replace("{content}", content, 1)
    modifiers = (
        ("{prompt}", prompt),
        ("{targetLanguage}", target_language),
        ("{tone}", tone),
    )
    for placeholder, value in modifiers:
        if value and placeholder in template:
            rendered = rendered.replace(placeholder, value, 1)
    return rendered
