"""HTTP routes for the checkout service"""
