import sys
from typing import Optional, Sequence, Type, TypeVar

from absl import flags
from IPython import get_ipython
from ml_collections import config_flags

A = TypeVar("A")


def setup_config(
    config_class: Type[A],
    argv: Optional[Sequence[str]] = None,
    flag_values: flags.FlagValues = flags.FLAGS,
) -> A:
    """Instantiates ``config_class`` and applies ``--config.<field>=<value>`` overrides.

    ``argv`` defaults to ``sys.argv``; its first entry is the program name.
    Inside an IPython session the defaults are returned without parsing flags.
    """
    config = config_class()
    if not get_ipython():
        config_flag = config_flags.DEFINE_config_dataclass("config", config, flag_values=flag_values)
        flag_values(list(argv) if argv is not None else sys.argv)
        config = config_flag.value
    return config
