"""Exceptions raised by the kernel subsystems."""


class KernelError(Exception):
    """Base class of every error the kernel subsystems raise."""


class NotFoundError(KernelError, LookupError):
    """A named object, device or filesystem does not exist."""


class NotADirectoryError_(KernelError, NotADirectoryError):
    """A directory operation was applied to something that is not a directory."""


class NotEmptyError(KernelError):
    """A directory could not be removed because it still has entries."""


class OutOfSpaceError(KernelError):
    """No free blocks or inodes are left, or a block number is out of range."""


class InvalidRequestError(KernelError, ValueError):
    """The arguments of a request make no sense for the target object."""


class NotImplementedOperationError(KernelError, NotImplementedError):
    """The driver or filesystem does not support the requested operation."""


class NotExecutableError(KernelError):
    """A file is not a valid executable image."""


class ExecutionFailedError(KernelError):
    """An executable image could not be loaded completely."""