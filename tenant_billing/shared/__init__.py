# 📄 File: tenant_billing/shared/__init__.py
#
# 🧭 Purpose (Layman Explanation):
# Marks the 'shared' folder as a package of common tools (settings, logging, database access)
# that every part of the billing service uses.
#
# 🧪 Purpose (Technical Summary):
# Shared kernel package initialization for configuration, exceptions, logging,
# database session management and the generic external API client.
#
# 🔗 Dependencies:
# - Python packaging system
#
# 🔄 Connected Modules / Calls From:
# - All tenant_billing modules importing shared utilities
