"""Hypervisor backends for kvmnet."""
