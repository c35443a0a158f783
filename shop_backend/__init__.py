"""
Backend boutique (commandes, réservations) : checkout Stripe, webhook, rapprochement.
"""
