"""fleetwipe: delete a list of paths across a fleet of hosts and report what happened."""

__version__ = "0.1.0"
