"""
HelpFlow Backend: API Routes Package
=====================================

Route Inventory:
    - webhooks.py:  POST /api/webhooks/clerk
                    POST /api/webhooks/stripe
    - billing.py:   POST /api/stripe/create-checkout-session
                    POST /api/stripe/customer-portal
    - messages.py:  POST /api/ai/generate-message
    - profiles.py:  GET  /api/profiles/{clerk_user_id}
                    GET  /api/profiles/{profile_id}/messages
    - health.py:    GET  /health

Routes stay thin: extract the request data, call one service, return its
result. Errors are typed exceptions turned into responses by main.py.
"""
