from .zarr_writer import stack_to_zarr

__all__ = ["stack_to_zarr"]
