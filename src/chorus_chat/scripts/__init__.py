"""Operational scripts for Chorus Chat."""
