"""perftrack: personal performance tracking with AI-assisted reports.

Log goals, tasks and achievements, import task-list exports, and generate
Weekly, Monthly or Quarterly performance reports through a Gemini-backed
text generator.
"""

__version__ = "1.0.0"
