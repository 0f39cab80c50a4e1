"""Canonical name normalization for catalog lookups."""

from quotecalc.canonical.normalize import infer_unit, normalize_name

__all__ = ["normalize_name", "infer_unit"]
