"""
Prompt Construction
===================

Builds the instruction sent to the description model.

Policy:
    1. A user prompt is interpolated into a 40-word answer instruction
    2. Otherwise the context (current description) specialises the prompt:
       a person -> actions and objects, a document or text -> visible text
    3. Otherwise a brief 30-word default is used
"""

from typing import Optional


DEFAULT_PROMPT = "Describe what you see briefly for a voice conversation (max 30 words)."
PERSON_PROMPT = "What is the person doing now? Focus on actions and objects. 30 words max."
DOCUMENT_PROMPT = "Describe any text or document content visible. 35 words max."
USER_PROMPT_TEMPLATE = 'User asks: "{prompt}". Describe what you see in 40 words or less.'


def build_prompt(user_prompt: Optional[str] = None, context: Optional[str] = None) -> str:
    """
    Build the model instruction for one description call.

    Args:
        user_prompt: Optional user question
        context: Current scene description, if any

    Returns:
        Instruction text
    """
    if user_prompt:
        return USER_PROMPT_TEMPLATE.format(prompt=user_prompt)

    if context:
        if "person" in context:
            return PERSON_PROMPT
        if "document" in context or "text" in context:
            return DOCUMENT_PROMPT

    return DEFAULT_PROMPT
