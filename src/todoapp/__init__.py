"""TodoApp — two-tier to-do list.

A JSON API (authentication, user management, to-do persistence) and a
front-end tier that keeps the API's bearer token in a session cookie and
proxies to the API on the caller's behalf.
"""

__version__ = "0.1.0"
