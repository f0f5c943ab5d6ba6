"""
WasteWise backend
Waste classification, carbon footprint tracking and community engagement
on top of Supabase
"""

__version__ = "1.0.0"
