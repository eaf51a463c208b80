# 📄 File: tenant_billing/api/__init__.py
# 🧭 Purpose (Layman Explanation):
# Marks the api folder as a package so the app can load its web routes.
# 🧪 Purpose (Technical Summary):
# Package initialization for the HTTP layer (versioned routers).
# 🔗 Dependencies:
# None (package initialization)
# 🔄 Connected Modules / Calls From:
# tenant_billing/main.py
