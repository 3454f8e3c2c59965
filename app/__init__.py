"""
EVENTOS QR - Control de ingreso, boletería y caja
"""

__version__ = "1.0.0"
