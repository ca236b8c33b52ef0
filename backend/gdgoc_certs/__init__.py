"""GDGoC certificate issuing and validation API"""

__version__ = "1.0.0"
