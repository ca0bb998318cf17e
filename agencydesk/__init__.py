"""Agency Desk - payroll, buy order and insurance back office tools."""

__version__ = "0.3.0"
