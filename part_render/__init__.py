"""
part-render: compile incomplete UI component fragments in the context of a project.
"""

__version__ = "0.3.0"
