"""Scraper package providing modular components for the profile scraper.

This package contains small, well-defined modules (queue, identity, browser
session, block detection, CAPTCHA mitigation, orchestration) so that a run
can be interrupted at any point and resumed without losing or duplicating
work.
"""
