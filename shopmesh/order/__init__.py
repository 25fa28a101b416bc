"""Orders, order items, partner commissions, service clients and order workflows."""