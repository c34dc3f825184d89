"""A+ Planner backend."""
