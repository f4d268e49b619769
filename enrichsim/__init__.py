"""Uranium enrichment facility for discrete-time fuel-cycle simulations."""
__version__ = "1.0"
