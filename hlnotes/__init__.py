"""
hlnotes: hledger transactions kept in daily Markdown notes.

A command-line tool that records double-entry transactions inside daily
notes and moves them between those notes and an hledger journal file.
"""

import logging

try:
    from hlnotes._version import version as __version__
except ImportError:
    __version__ = "0.0.0.dev0"

# Library modules never configure output; the CLI attaches the handler
logging.getLogger(__name__).addHandler(logging.NullHandler())
