"""
TFS Blame - line annotation for TFS-controlled sources.

Drives an external annotation engine through a long-lived child process,
sending one file path per request over stdin and decoding the per-line
revision, author and date records it writes back on stdout.
"""

__version__ = "1.0.0"
