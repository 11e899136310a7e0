"""
Hearth Butler Backend — API Routes Package
============================================

What:  HTTP route handlers. Each module covers one resource family and stays
       thin: extract request data, call a service, shape the response.

Route Inventory:
    - auth.py:           /api/auth/*
    - families.py:       /api/families/*
    - health_data.py:    /api/members/{id}/health-data[/latest|/trends], /api/health-data/{id}
    - goals.py:          /api/members/{id}/goals/*
    - nutrition.py:      /api/foods/*, /api/nutrition/calculate, meals
    - budgets.py:        budgets, spendings, alerts, optimizer, economic plan
    - shopping.py:       shopping lists and items
    - devices.py:        device connections and sync
    - reports.py:        medical report upload, OCR and corrections
    - social.py:         share links, leaderboards and achievements
    - notifications.py:  /api/notifications/*
    - health.py:         GET /health

Authentication is resolved in deps.py; authorization lives in the services.
"""
