# Services package init
"""
Hearth Butler Backend — Services Layer
========================================

What:  Business logic between the routers and the database.
How:   One class per concern with a module-level singleton. Methods take the
       request's AsyncSession and the calling User; authorization is checked
       through FamilyService before any data is read or written.

Service Inventory:
    - AuthService:           accounts, password hashing, session tokens
    - FamilyService:         families, members, access control
    - HealthDataService:     measurements and source-priority deduplication
    - FoodService, MealService, nutrition_calculator: catalogue, prices, meals
    - BudgetTracker:         budgets, spending, threshold alerts
    - CostOptimizer, EconomicMode: cheaper shopping lists and daily meal plans
    - ShoppingService:       family shopping lists
    - DeviceSyncService:     wearable connections and sync (health_platforms/)
    - MedicalReportService:  upload → OCR (GeminiOCRService) → report_parser
    - ShareService, LeaderboardService: sharing and family rankings
    - NotificationService:   in-app notifications
"""
