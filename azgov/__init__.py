"""Azure governance scripts: role validation, compliance, assignments and WAF exceptions."""

__version__ = "0.1.0"
