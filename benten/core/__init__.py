"""benten コアモジュール"""
from .credentials import CredentialStore
from .b2_client import AuthBroker, B2HttpClient, SessionCache, SessionProvider
from .upload_url import UploadUrlBroker
from .uploader import ObjectUploader, LargeFileUploader, ParallelUploadExecutor
from .task_runner import BackupOrchestrator, BackupReport

__all__ = [
    'CredentialStore',
    'AuthBroker',
    'B2HttpClient',
    'SessionCache',
    'SessionProvider',
    'UploadUrlBroker',
    'ObjectUploader',
    'LargeFileUploader',
    'ParallelUploadExecutor',
    'BackupOrchestrator',
    'BackupReport',
]
