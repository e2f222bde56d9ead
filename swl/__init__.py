"""Swarm Listener (SWL).

Watches the services of a Docker Swarm cluster and notifies external systems
through HTTP callbacks when services carrying the ``com.df.notify`` label are
created or removed:
 - change detection against an in-memory watermark and known-service set
 - retrying webhook delivery with fixed-interval backoff
 - a small status API and CLI for operators
"""
