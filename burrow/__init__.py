import litellm

__version__ = "0.1.0"


# provider quirks are normalized by litellm, keep it quiet
litellm.drop_params = True
litellm.suppress_debug_info = True
