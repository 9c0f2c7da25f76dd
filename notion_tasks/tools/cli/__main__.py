"""
Allow invoking CLI as `python -m notion_tasks.tools.cli`.
"""

from .main import run

run()
