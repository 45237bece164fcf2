"""Resolve skill selections per stack and compile them into agent files."""

__version__ = "0.1.0"
