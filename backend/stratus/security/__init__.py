# Security package init
"""
Stratus Backend: Credential & Session Primitives
=================================================

Leaf components used by the auth service:
    - passwords:  bcrypt hash / constant-time verify (+ thread-offloaded async wrappers)
    - tokens:     64-hex CSPRNG verification and reset tokens, expiry helpers
    - validators: email shape and password strength predicates
    - sessions:   HS256 JWT issue / verify into a validated Claims object

None of these touch storage or HTTP.
"""
