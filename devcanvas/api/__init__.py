"""External surfaces of DevCanvas."""
