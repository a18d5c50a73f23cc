"""
LCF Auto Performance backend: appointments, loyalty program and revenue reports.
"""
__version__ = "1.0.0"
