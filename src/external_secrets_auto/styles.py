"""Shared styling for questionary prompts."""

from questionary import Style

PROMPT_STYLE = Style(
    [
        ("qmark", "fg:#5fafff bold"),
        ("question", "bold"),
        ("answer", "fg:#87d787 bold"),
        ("pointer", "fg:#5fafff bold"),
        ("highlighted", "fg:#1c1c1c bg:#5fafff bold"),
        ("instruction", "fg:#6c6c6c italic"),
        ("text", ""),
    ]
)

POINTER = "› "
QMARK = "? "
