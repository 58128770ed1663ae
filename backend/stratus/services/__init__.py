# Services package init
"""
Stratus Backend: Services Layer
================================

What:  Business logic between routes (HTTP) and storage.
How:   Services take plain values, enforce the rules, and raise
       StratusError subclasses; routes only translate HTTP in and out.

Service Inventory:
    - AuthService:    register, login, verify_email, password reset
                      (per request; built with a UserRepository and the
                      SessionManager)
    - WeatherService: OpenWeather proxy behind a circuit breaker (singleton)
    - HistoryService: per-user search history (singleton, stateless)
    - ProfileService: profile edits and account deletion (per request)
"""
