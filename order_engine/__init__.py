"""
                Restaurant Order Engine

Order creation and pricing backend for a restaurant ordering site:
cart checkout, VAT decomposition, coupon discounts, delivery-fee
policy and atomic order persistence.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
