"""agentrender - server-executed agent logic driving client-resident UI."""

__version__ = "0.1.0"
