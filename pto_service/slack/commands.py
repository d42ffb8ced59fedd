import enum


class PtoCommand(str, enum.Enum):
    HELP = "help"
    BALANCE = "balance"
    REQUEST = "request"
    UNKNOWN = "unknown"


def parse_command(text) -> PtoCommand:
    """Map the free text after the slash command onto a PtoCommand. Empty text means help."""
    word = (text or "").strip().lower()
    if not word:
        return PtoCommand.HELP
    word = word.split()[0]
    try:
        command = PtoCommand(word)
    except ValueError:
        return PtoCommand.UNKNOWN
    return command
