"""Building blocks shared by the compiler, cache and engine."""
