"""OpenID Connect login pieces for Kubernetes: ID tokens, kubeconfig, options and credential output."""

__version__ = "0.1.0"