"""
Accord Test Suite

Unit tests for the key parser, attribute resolver, resource planner and
convergence applier, plus the core pipeline and CLI built on them.
"""
