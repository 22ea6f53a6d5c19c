"""KARAK: policy-mediated electronic patient folder."""

__version__ = "1.0.0"
