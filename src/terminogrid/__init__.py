"""terminogrid -- Container dashboard backend with interactive terminals.

Lists, starts and stops the containers on one host and bridges browser
WebSockets to shells running inside them.
"""

__version__ = "0.1.0"
