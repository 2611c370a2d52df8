"""Mole detection and annotation pipeline."""
