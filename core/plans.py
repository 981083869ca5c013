"""
Default Guild plan catalog.

Seeded into ``subscription_plans`` on a fresh database. After seeding, the
database is authoritative: admins edit plans through the API.
"""

DEFAULT_PLANS = [
    {
        "name": "Starter",
        "code": "STARTER",
        "description": "For small alumni associations getting started",
        "price_monthly": 2999,
        "price_quarterly": 7999,
        "price_yearly": 29999,
        "max_users": 500,
        "storage_quota_mb": 5120,
        "trial_days": 7,
        "is_popular": False,
        "sort_order": 1,
        "features": [
            "Up to 500 members",
            "5 GB storage",
            "Member directory",
            "Events & announcements",
            "Email support",
        ],
    },
    {
        "name": "Professional",
        "code": "PROFESSIONAL",
        "description": "For growing institutions with active alumni networks",
        "price_monthly": 5999,
        "price_quarterly": 15999,
        "price_yearly": 59999,
        "max_users": 2000,
        "storage_quota_mb": 20480,
        "trial_days": 7,
        "is_popular": True,
        "sort_order": 2,
        "features": [
            "Up to 2,000 members",
            "20 GB storage",
            "Everything in Starter",
            "Job board & mentorship",
            "Donations",
            "Android app",
            "Priority support",
        ],
    },
    {
        "name": "Enterprise",
        "code": "ENTERPRISE",
        "description": "For universities and multi-campus groups",
        "price_monthly": 14999,
        "price_quarterly": 39999,
        "price_yearly": 149999,
        "max_users": 10000,
        "storage_quota_mb": 102400,
        "trial_days": 14,
        "is_popular": False,
        "sort_order": 3,
        "features": [
            "Up to 10,000 members",
            "100 GB storage",
            "Everything in Professional",
            "Custom branding",
            "Dedicated account manager",
            "SLA",
        ],
    },
]
