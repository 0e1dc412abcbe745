"""
Browser automation for script-rendered targets.
"""

from app.scraping.headless.browser import BrowserSession, HeadlessEngine

__all__ = ["BrowserSession", "HeadlessEngine"]
