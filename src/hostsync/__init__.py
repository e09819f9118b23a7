"""hostsync package"""
