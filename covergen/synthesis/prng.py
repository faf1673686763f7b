MODULUS = 2**32
MULTIPLIER = 1664525
INCREMENT = 1013904223


class SeededRandom:
    """32-bit linear congruential generator.

    Each instance owns its state; two instances built from the same seed
    produce the same stream.
    """

    def __init__(self, seed: int) -> None:
        self.seed = int(seed) % MODULUS
        self.current = self.seed

    def next_state(self) -> int:
        self.current = (self.current * MULTIPLIER + INCREMENT) % MODULUS
        return self.current

    def next(self) -> float:
        return self.next_state() / MODULUS
