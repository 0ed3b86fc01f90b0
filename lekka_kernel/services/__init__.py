"""Kernel services -- the imperative shell around the domain core."""
