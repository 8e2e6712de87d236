"""
HelpFlow Backend: Services Package
===================================

Business logic, independent of HTTP concerns. Routes call services; services
call the database and the external platforms.

    status_rules               shared status derivation and transitions
    identity_webhook_service   Clerk user events → profiles
    billing_gateway            the only Stripe API caller
    checkout_service           checkout and billing portal URLs
    billing_webhook_service    Stripe lifecycle events → profiles
    llm_base / gemini_service  email composition
    delivery_service           downstream delivery webhook
    message_service            generate-and-deliver orchestration
    profile_service            profile reads
"""
