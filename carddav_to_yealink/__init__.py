"""
CardDAV to Yealink phonebook converter
"""

__version__ = "1.0.0"
__title__ = "CardDAV to Yealink"
