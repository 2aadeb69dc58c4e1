def format_duration(time_in_seconds: float) -> str:
    hours = int(time_in_seconds // 3600)
    mins = int((time_in_seconds % 3600) // 60)
    secs = time_in_seconds % 60
    return f"{hours:02d}:{mins:02d}:{secs:06.3f}"
