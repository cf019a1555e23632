from .process import PerturbationProcess, clamp_non_negative

__all__ = ["PerturbationProcess", "clamp_non_negative"]
