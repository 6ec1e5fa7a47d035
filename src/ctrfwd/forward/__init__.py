"""
Local port-forwarding engine.

Turns ``-L`` specifications into proxy containers and keeps them running
across restarts of the target container.
"""
