from __future__ import annotations

from .normalize import norm_text

def resolve_choice(user_input: str, options: list[str] | tuple[str, ...]) -> str | None:
    if not options:
        return None
    raw = norm_text(user_input or "")
    if not raw:
        return None
    cleaned = raw.strip()

    # exact option text wins over letter/index shortcuts ("A" may be an option)
    normalized = {norm_text(opt).casefold(): str(opt) for opt in options}
    key = cleaned.casefold()
    if key in normalized:
        return normalized[key]

    if len(cleaned) == 1 and cleaned.isalpha():
        idx = ord(cleaned.upper()) - ord("A")
        if 0 <= idx < len(options):
            return str(options[idx])

    if cleaned.isdigit():
        idx = int(cleaned)
        if 1 <= idx <= len(options):
            return str(options[idx - 1])

    return None
