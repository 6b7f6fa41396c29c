"""
Signature Comparator: scores how alike two face signatures are.

The score is a box-dimension proxy, not biometric matching:

    similarity = 1 - (|a.w - b.w| + |a.h - b.h|) / (a.w + a.h)

clamped to [0, 1]. The denominator only uses `a`, so compare(a, b) and
compare(b, a) differ whenever the boxes differ in size. Callers pass the
stored signature as `a`.
"""

NORMALIZE_FIRST = 'first'
NORMALIZE_SYMMETRIC = 'symmetric'
NORMALIZATION_MODES = (NORMALIZE_FIRST, NORMALIZE_SYMMETRIC)


def dimension_difference(a, b) -> float:
    """Raw, unnormalized |width diff| + |height diff| between two boxes."""
    return abs(a.width - b.width) + abs(a.height - b.height)


def compare(a, b, normalization: str = NORMALIZE_FIRST) -> float:
    """
    Score similarity between two signatures.

    Args:
        a: reference signature (anything with width/height), or None
        b: candidate signature, or None
        normalization: 'first' divides by a's width + height;
            'symmetric' divides by the mean of both

    Returns:
        float in [0, 1]; 0.0 if either side is missing
    """
    if a is None or b is None:
        return 0.0
    if normalization not in NORMALIZATION_MODES:
        raise ValueError(f"Unknown normalization mode: {normalization}")

    if normalization == NORMALIZE_SYMMETRIC:
        denominator = ((a.width + a.height) + (b.width + b.height)) / 2.0
    else:
        denominator = a.width + a.height

    if denominator <= 0:
        return 0.0

    similarity = 1.0 - dimension_difference(a, b) / denominator
    return max(0.0, min(1.0, similarity))
