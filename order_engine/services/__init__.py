"""
                        Services Module

Business logic of the order engine. Collaborators that reach outside
the process have a Mock (development, tests) and a Real (production)
implementation, chosen by ENV_MODE.

Services:
    - order_factory: checkout pipeline, order lookup and status changes
    - pricing / coupons / money: VAT split, totals and discounts
    - phone / order_number / idempotency: request checks and identifiers
    - repositories: async SQLAlchemy data access
    - cart: in-memory and Redis cart storage
    - geo: zip-table and Google Maps delivery-range checks
    - notifications: logged or SendGrid/Twilio order notifications
"""
