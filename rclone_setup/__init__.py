"""
rclone-setup: provision a scheduled rclone backup job.

This package writes the rclone remote configuration, generates the sync
script and keeps a single crontab entry pointing at it, touching each
artifact only when its content actually changes.
"""

__version__ = "0.1.0"
