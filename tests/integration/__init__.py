"""Integration tests that drive ``python -m stage_planner`` in a subprocess."""
