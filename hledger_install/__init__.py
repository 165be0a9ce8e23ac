"""Install hledger and its companion tools on POSIX hosts."""

__version__ = "20170727"
