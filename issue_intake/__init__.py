"""
Issue Intake
============

Turns free-form bug/request submissions (text, images, audio, video) into
routed, deduplicated Linear issues.
"""

__version__ = "1.0.0"
