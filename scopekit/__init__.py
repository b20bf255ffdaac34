from .scope import (
    Closable,
    Scope,
    ChainScope,
    WrapperScope,
    CollectScope,
)
from .async_scope import (
    AsyncScope,
    AsyncChainScope,
    AsyncWrapperScope,
    AsyncCollectScope,
    aclose_handle,
)
from .errors import (
    ScopeError,
    CloseError,
    HandoffError,
    add_suppressed,
    suppressed_of,
)
from .logger import ConsoleLogger, get_logger, set_logger, reset_logger, use_logger
