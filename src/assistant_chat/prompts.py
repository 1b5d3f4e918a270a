"""System directive handed to the completion provider."""

from enum import Enum


class ReplyLength(str, Enum):
    COMPACT = "compact"
    DEFAULT = "default"
    VERBOSE = "verbose"


_LENGTH_DIRECTIVES = {
    ReplyLength.COMPACT: "Keep the script short and focused with minimal boilerplate.",
    ReplyLength.DEFAULT: "Choose an appropriate script length based on the user request.",
    ReplyLength.VERBOSE: "Provide a more comprehensive, larger script with helpful comments.",
}


def build_system_directive(length: ReplyLength = ReplyLength.DEFAULT) -> str:
    """Return the system directive for the given reply length preference."""
    return (
        "You are Gemini, a helpful AI assistant from Google.\n"
        f"When generating code or scripts, follow this length preference: {_LENGTH_DIRECTIVES[length]}\n"
        "Explain your thought process briefly before showing code.\n"
        "Wrap all code in triple backticks (```), do not include language labels.\n"
        "Use *italics* and **bold** for emphasis and no other markup. "
        "Keep responses clear and friendly."
    )
