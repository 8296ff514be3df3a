"""Projection of quest platform contract events into a queryable read model."""

__version__ = "0.1.0"
