"""Building blocks for interactive SSH-style command servers: tries, tables,
logging, observers, storage, a line-editing terminal, connection multiplexing
and a user registry."""

__version__ = "0.1.0"