"""One-time code generation."""

import random

CODE_MIN = 100_000
CODE_MAX = 999_999

_system_rng = random.SystemRandom()


def generate_code(rng: random.Random | None = None) -> str:
    """Draw a 6-digit code uniformly from ``[100000, 999999]``.

    Pass a seeded ``random.Random`` for reproducible draws.
    """
    return str((rng or _system_rng).randint(CODE_MIN, CODE_MAX))
