"""
Keepy: a personal organizer for social-media profiles and website links.

Profiles are filed into folders, categories and subcategories, filtered,
sorted, shared as a text report and backed up as JSON.
"""

__version__ = "0.1.0"
