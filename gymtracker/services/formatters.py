def format_duration(ms: int) -> str:
    """Workout length, e.g. ``1h 5min`` or ``42min``."""
    minutes = round(ms / 1000) // 60
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}min"
    return f"{minutes}min"


def format_elapsed(ms: int) -> str:
    total = ms // 1000
    return f"{total // 60:02d}:{total % 60:02d}"


def format_countdown(seconds: int) -> str:
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def fmt_kg(kg: float) -> str:
    if kg % 1 == 0:
        return f"{int(kg)}kg"
    return f"{kg:.1f}kg"


def fmt_percent(pct: float) -> str:
    sign = "+" if pct >= 0 else ""
    return f"{sign}{pct:.1f}%"


def fmt_volume(kg: float) -> str:
    if kg >= 1000:
        return f"{kg / 1000:.1f}t"
    return f"{kg:.0f}kg"
