"""Terminal rendering of audit results."""
from qastell.interface.console import create_summary_table, print_summary

__all__ = ["create_summary_table", "print_summary"]
