"""Core types and helpers shared by every Roster component."""
