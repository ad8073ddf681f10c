"""Prompt templating helpers."""
from __future__ import annotations

from bookgen_proxy.common.schema import (
    GenerationRequest,
    Message,
    RemoteGenerationRequest,
    RemoteInput,
)

MODEL_ID = "qwen-plus"
RESULT_FORMAT = "message"

SYSTEM_TEMPLATE = """You are a professional book writer.
Generate a complete book with the following details:
- Title: {{title}}
- Description: {{description}}
- Number of chapters: {{chapters}}

The book should have a coherent narrative that follows the description.
Each chapter should have a title and substantial content.
Format the book with proper Markdown, including headings for chapters.
Create a compelling opening and satisfying conclusion."""

USER_TEMPLATE = (
    "Please generate a complete book titled '{{title}}' with {{chapters}} chapters "
    "based on this description: {{description}}"
)


def render_prompt(template: str, **values: object) -> str:
    """
    Render values into the template.

    Args:
        template: Template content containing {{name}} placeholders.
        values: Replacement for each placeholder, inserted verbatim.

    Returns:
        Rendered prompt.
    """
    # single pass so a value containing "{{x}}" is never expanded again
    out = []
    rest = template
    while "{{" in rest:
        head, _, tail = rest.partition("{{")
        name, sep, after = tail.partition("}}")
        if not sep or name not in values:
            out.append(head + "{{")
            rest = tail
            continue
        out.append(head + str(values[name]))
        rest = after
    out.append(rest)
    return "".join(out)


def build_system_prompt(req: GenerationRequest) -> str:
    return render_prompt(
        SYSTEM_TEMPLATE, title=req.title, description=req.description, chapters=req.chapters
    )


def build_user_prompt(req: GenerationRequest) -> str:
    """Restate title, chapter count and description as the user turn."""
    return render_prompt(
        USER_TEMPLATE, title=req.title, description=req.description, chapters=req.chapters
    )


def build_remote_request(req: GenerationRequest) -> RemoteGenerationRequest:
    """System message first, then user message."""
    return RemoteGenerationRequest(
        model=MODEL_ID,
        input=RemoteInput(
            messages=[
                Message(role="system", content=build_system_prompt(req)),
                Message(role="user", content=build_user_prompt(req)),
            ]
        ),
        result_format=RESULT_FORMAT,
    )
