"""Domain layer -- pure value objects, DTOs and helpers (no I/O)."""
