"""JugaBar - Korean stock portfolio tracker core"""

__version__ = "0.1.0"
