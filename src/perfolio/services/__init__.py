"""Computation services: valuation, performance metrics, engine and reporting."""
