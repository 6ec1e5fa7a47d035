"""
ctrfwd - publish ports of already running containers.

Forwards host ports into a running container's network, or into its network
namespace, through short-lived socat proxy containers.
"""

__version__ = "0.1.0"
