"""Turn rendered config text into the command batch sent to the device."""

SEPARATOR = "!"


def filter_commands(raw: str) -> list[str]:
    """
    Split rendered text into commands.

    Lines are stripped; ``!`` separator lines and blank lines are dropped;
    order is preserved.

    Example:
        "  vlan 10 \\n!\\n name Eng\\n" -> ["vlan 10", "name Eng"]
    """
    if not raw:
        return []

    commands = []
    for line in raw.splitlines():
        line = line.strip()
        if not line or line == SEPARATOR:
            continue
        commands.append(line)
    return commands
