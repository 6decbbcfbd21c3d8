"""Attendance Notifier package.

Turns attendance patterns into alerts and delivers the resulting email
notifications. Organized by feature modules (alerts, notifications,
unsubscribes, ...) with repository interfaces, MySQL implementations, service
classes and a thin Flask controller layer wired together in ``container``.
"""
