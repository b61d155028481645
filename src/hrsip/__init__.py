"""MW-HR-SIP treatment/control subsetting, dispatch and post-processing."""
__version__ = "0.1.0"
