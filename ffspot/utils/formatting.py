"""
Human-readable sizes and durations for the session summary.
"""

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(num_bytes: float) -> str:
    """'0 B', '512 B', '145.3 MB'."""
    if num_bytes <= 0:
        return "0 B"
    for unit in SIZE_UNITS[:-1]:
        if num_bytes < 1024:
            return f"{num_bytes:.0f} B" if unit == "B" else f"{num_bytes:.1f} {unit}"
        num_bytes /= 1024
    return f"{num_bytes:.1f} {SIZE_UNITS[-1]}"


def format_duration(seconds: float) -> str:
    """'2h 34m 12s', '5m', '0s'."""
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    parts = [
        f"{value}{suffix}"
        for value, suffix in ((hours, "h"), (minutes, "m"), (secs, "s"))
        if value
    ]
    return " ".join(parts) or "0s"
