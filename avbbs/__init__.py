"""
avbbs — a very basic build system.

Builds a tree of source packages in dependency order, running a fixed
sequence of phases per package and remembering which phases already
finished so an interrupted build resumes where it stopped.
"""

__version__ = "0.1.0"
