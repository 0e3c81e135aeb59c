from upfolio.models.account import Account
from upfolio.models.job_application import JobApplication
from upfolio.models.resume_version import ResumeVersion, VersionState

__all__ = ["Account", "JobApplication", "ResumeVersion", "VersionState"]
