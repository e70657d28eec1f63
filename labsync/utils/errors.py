"""Domain exceptions raised by LabSync services and mapped to HTTP errors by routers."""


class LabSyncError(Exception):
    """Base class for LabSync service errors."""


class LLMUnavailableError(LabSyncError):
    """No LLM provider is configured or every provider in the chain failed."""


class TranscriptionError(LabSyncError):
    pass


class SpeechSynthesisError(LabSyncError):
    pass


class ReportNotFoundError(LabSyncError):
    def __init__(self, report_id: str):
        super().__init__(f"Report not found: {report_id}")
        self.report_id = report_id


class TrendAnalysisError(LabSyncError):
    pass


class StorageError(LabSyncError):
    pass
