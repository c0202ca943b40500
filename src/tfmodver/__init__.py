"""Report and update version pins of Terraform registry modules."""

__version__ = "0.3.0"
