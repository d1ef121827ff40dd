"""Upstream provider adapters, one module per data kind."""

import hashlib
import random


def seeded_rng(*parts: object) -> random.Random:
    """Deterministic RNG keyed on the query so synthetic data is stable."""
    seed_str = "_".join(str(p) for p in parts)
    seed = int(hashlib.md5(seed_str.encode()).hexdigest()[:8], 16)
    return random.Random(seed)
