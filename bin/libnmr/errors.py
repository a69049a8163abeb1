#!/usr/bin/env python3

class RebuildError(RuntimeError):
    """
    Base class for every failure that stops a module rebuild. Each stage of
    the rebuild raises one of the subclasses below and nothing retries.
    """
    def __init__(self, message, log_tail=False, guidance=False):
        """
        Args:
            message - A human readable description of the failure
            log_tail - (optional) The last lines of the relevant log file
            guidance - (optional) Commands the operator can use to recover
        """
        super().__init__(message)
        self.log_tail = log_tail or []
        self.guidance = guidance or []

class NginxEnvironmentError(RebuildError):
    """The installed nginx binary could not be found or its -V output parsed."""
    pass

class FetchError(RebuildError):
    """A source archive or module repository could not be retrieved."""
    pass

class ConfigureError(RebuildError):
    pass

class BuildError(RebuildError):
    pass

class ArtifactMissingError(RebuildError):
    """An expected .so file is absent or empty after the build step."""
    pass

class InstallError(RebuildError):
    pass

class ConfigValidationError(RebuildError):
    """nginx -t rejected the configuration after the modules were installed."""
    pass

class ServiceStartError(RebuildError):
    pass
