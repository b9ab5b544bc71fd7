def clip(text: str, limit: int) -> str:
    """Collapse whitespace and cap ``text`` at ``limit`` chars for log lines and error messages."""
    normalized = " ".join(text.split()).strip()
    if len(normalized) <= limit:
        return normalized
    return f"{normalized[:limit]}...(truncated)"
