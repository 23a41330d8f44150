from __future__ import annotations

from typing import Iterable, Optional

from .commands import CommandGrammar, get_grammar


def page_labelled_text(contents: Iterable[str]) -> str:
    return "\n\n".join(f"[Page {idx + 1}]\n{text}" for idx, text in enumerate(contents))


def _command_rules(grammar: CommandGrammar) -> str:
    highlight = (
        "/highlight/{n}/{term}" if grammar.page_qualified_highlight else "/highlight/{term}"
    )
    lines = [
        "Command Formatting Rules:",
        f'- Add the commands only at the very end of your response, after a line reading "{grammar.marker}".',
        "- No text or follow-up questions after them.",
        "- Include only one type of command per response:",
    ]
    if grammar.page_jump:
        lines.append("  - Either a single page switch: /page/{n}")
    lines.append(f"  - Or a single highlight: {highlight}")
    if grammar.annotate:
        lines.append("  - Or one or more annotations, one per line: /annotate/{n}/{text}")
    lines.append("- Page numbers start at 1.")
    return "\n".join(lines)


def build_system_prompt(contents: Iterable[str], grammar: Optional[CommandGrammar] = None) -> str:
    """System prompt for the tutor model, teaching it the command grammar."""
    grammar = grammar or get_grammar(None)
    example_highlight = (
        "/highlight/3/non-violence" if grammar.page_qualified_highlight else "/highlight/non-violence"
    )
    return "\n\n".join(
        [
            "You are an AI tutor. The user has uploaded a study document, and your job is to "
            "assist them in learning from it.",
            "Here is the document content:\n" + page_labelled_text(contents),
            "Follow these rules:\n"
            "- Base your answers on the document content when possible.\n"
            "- If you answer from general knowledge, say that the information is not from the document.\n"
            '- When referencing specific content, always use the format "page[n]" '
            '(e.g. "as explained on page[3] and page[4]").\n'
            "- Quoted phrases must exactly match the document (case-insensitive).\n"
            "- Annotations should be less than 3 sentences each.",
            _command_rules(grammar),
            "Example response:\n"
            "Your answer here with references to 'non-violence' as seen on page[3].\n\n"
            f"{grammar.marker}\n{example_highlight}",
        ]
    )
