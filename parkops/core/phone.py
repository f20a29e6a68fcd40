import re

_NON_DIGITS = re.compile(r"\D+")


def digits_only(value: str | None) -> str:
    return _NON_DIGITS.sub("", value or "")


def normalize_phone(value: str | None) -> str:
    """Normalize Nigerian numbers to +234XXXXXXXXXX; anything else to its digits."""
    digits = digits_only(value)
    if not digits:
        return ""
    if digits.startswith("234") and len(digits) == 13:
        return "+" + digits
    if digits.startswith("0") and len(digits) == 11:
        return "+234" + digits[1:]
    if len(digits) == 10 and digits[0] in "789":
        return "+234" + digits
    return digits
