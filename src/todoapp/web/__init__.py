"""Front-end tier.

Learn: Browsers never talk to the API directly. They sign in here; the
API token they receive is stored inside a signed, HttpOnly session cookie
and forwarded verbatim as `Authorization: Bearer` on every proxied call.
This tier never mints or re-signs API tokens.
"""
