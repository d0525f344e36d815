"""Authentication and authorization.

Learn: Users log in with email/password and receive a signed JWT (2h,
no refresh). Every protected request presents it as a Bearer token; the
guard verifies it and then evaluates the route's entry in the policy table
before any handler code runs.

The front-end tier carries the same token inside its session cookie and
forwards it verbatim.
"""
