"""Assignments: the lifecycle state machine, its repositories and read models."""
