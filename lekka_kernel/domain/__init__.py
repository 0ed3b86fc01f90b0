"""Pure domain core: DTOs, pairing, money, tax arithmetic, chart naming, policy."""
