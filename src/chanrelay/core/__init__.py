"""Core types shared by every layer: errors, constants, outcomes."""
