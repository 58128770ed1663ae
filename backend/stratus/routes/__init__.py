# Routes package init
"""
Stratus Backend: API Routes Package
====================================

Route Inventory:
    - auth.py:     POST /api/auth/register | login | verify-email
                   POST /api/auth/forgot-password | reset-password
                   GET  /api/auth/me                               (protected)
    - weather.py:  GET  /api/weather/current?city=                 (protected)
                   GET  /api/weather/forecast?city=                (protected)
                   GET/DELETE /api/weather/history                 (protected)
                   DELETE /api/weather/history/{id}                (protected)
    - profile.py:  GET/PUT/DELETE /api/profile                     (protected)
                   PATCH /api/profile/preferences                  (protected)
    - health.py:   GET  /health
    - deps.py:     shared dependencies and the session guard

Routes stay thin: parse the request, call a service, shape the response.
"""
