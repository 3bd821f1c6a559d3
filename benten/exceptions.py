"""benten の例外定義"""


class BentenError(Exception):
    """benten の基底例外"""
    pass


class ConfigError(BentenError):
    """認証情報や設定を解決できない場合の例外"""
    pass


class RemoteApiError(BentenError):
    """B2 APIが2xx以外を返した場合の例外"""

    def __init__(self, status: int, code: str, message: str):
        super().__init__(message)
        self.status = status
        self.code = code
        self.message = message

    @classmethod
    def from_remote_error(cls, error) -> 'RemoteApiError':
        return cls(error.status, error.code, error.message)


class TransportError(BentenError):
    """リクエストの構築や通信に失敗した場合の例外"""
    pass


class FilesystemError(BentenError):
    """ソースパスのstat・一覧・読み込みに失敗した場合の例外"""

    def __init__(self, path: str, message: str):
        super().__init__(f"{message}: {path}")
        self.path = path
