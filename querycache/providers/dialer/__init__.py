"""Dialer providers.

CloudSQLDialer routes database connections through the Cloud SQL Python
Connector's authenticated tunnel.
"""

from querycache.providers.dialer.cloudsql_dialer import CloudSQLDialer

__all__ = ["CloudSQLDialer"]
