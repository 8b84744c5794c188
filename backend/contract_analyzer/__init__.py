"""
German Contract Analyzer
AI-assisted legal risk analysis with offset-resolved highlighting.
"""

__version__ = "1.0.0"
