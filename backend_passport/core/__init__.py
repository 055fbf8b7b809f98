"""Core building blocks shared by every layer (domain exceptions)."""
