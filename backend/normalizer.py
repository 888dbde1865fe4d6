import re

# Matches: ECE 30100, ECE-30100, ece30100, MA 26100, CS 15900, PHYS 17200H
DISPLAY_CODE = re.compile(r'^([A-Za-z]{2,6})\s*[-]?\s*(\d{3,5}[A-Za-z]?)$')
WHITESPACE = re.compile(r'\s+')


def canonical_code(raw) -> str:
    """
    Comparison key for a course code: whitespace stripped, upper-cased.
    'ECE 30100', 'ece30100' and ' Ece  30100 ' all map to 'ECE30100'.
    """
    if raw is None:
        return ""
    return WHITESPACE.sub("", str(raw)).upper()


def normalize_code(raw: str) -> str | None:
    """
    Normalizes a course code to display 'DEPT NNNNN' format.
    Handles: 'ece30100', 'ECE-30100', 'ECE 30100', 'ma 26100'
    Returns None if the string cannot be parsed as a course code.
    """
    if not raw or not raw.strip():
        return None
    m = DISPLAY_CODE.match(raw.strip())
    if m:
        dept = m.group(1).upper()
        num = m.group(2).upper()
        return f"{dept} {num}"
    return None


def split_course_tokens(raw) -> list[str]:
    """Accepts a list or a comma/newline/semicolon separated string."""
    if raw is None:
        return []
    if isinstance(raw, (list, tuple, set)):
        return [str(t).strip() for t in raw if str(t).strip()]
    return [t.strip() for t in re.split(r'[,\n;]+', str(raw)) if t.strip()]


def normalize_input(raw, catalog_codes: set) -> dict:
    """
    Splits free-form course input and normalizes each code.

    catalog_codes holds canonical keys (see canonical_code).

    Returns:
      {
        "valid":          ["ECE 20001", "MA 26100"],   # normalized + found in catalog
        "invalid":        ["asdfasdf"],                 # failed regex
        "not_in_catalog": ["ECE 99999"]                 # valid format but unknown course
      }
    """
    valid = []
    invalid = []
    not_in_catalog = []
    seen: set[str] = set()

    for token in split_course_tokens(raw):
        normalized = normalize_code(token)
        if normalized is None:
            if token not in seen:
                invalid.append(token)
                seen.add(token)
            continue
        key = canonical_code(normalized)
        if key in seen:
            continue  # deduplicate silently
        seen.add(key)
        if key not in catalog_codes:
            not_in_catalog.append(normalized)
        else:
            valid.append(normalized)

    return {"valid": valid, "invalid": invalid, "not_in_catalog": not_in_catalog}
