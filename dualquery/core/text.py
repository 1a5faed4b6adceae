def preview(text: str, max_len: int = 100) -> str:
    """Shorten text for log lines, marking the cut with an ellipsis."""
    text = str(text)
    return (text[:max_len] + "…") if len(text) > max_len else text
