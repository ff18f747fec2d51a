"""
Persistence adapters for uploaded files.

Services depend on the FileStorage protocol rather than on the filesystem so
other backends can be swapped in.
"""
