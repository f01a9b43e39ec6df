class StakePoolOpsError(Exception):
    # Sensitive errors may carry operator input; only a generic marker is logged.
    sensitive = False


class ConfigError(StakePoolOpsError):
    pass


class WalletNotFoundError(StakePoolOpsError):
    pass


class PoolNotFoundError(StakePoolOpsError):
    pass


class InsufficientFundsError(StakePoolOpsError):
    pass


class VersionMismatchError(StakePoolOpsError):
    pass


class DecryptionError(StakePoolOpsError):
    sensitive = True


class SubmissionError(StakePoolOpsError):
    pass


class ProcessError(StakePoolOpsError):
    sensitive = True


class RelayError(StakePoolOpsError):
    pass


class VaultError(StakePoolOpsError):
    pass
