def initials(name: str) -> str:
    """Return the first letter of each space-separated word in ``name``."""
    return "".join(part[0] for part in name.split(" ") if part)
