"""Activity registration & attendance verification package.

Feature modules (activities, conflicts, participation, attendance, ...) each
keep a plain domain model, a repository Protocol with its MySQL implementation,
a service layer and a thin Flask controller.
"""
