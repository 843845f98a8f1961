import xarray as xr


def stack_encoding(
    ds: xr.Dataset,
    append_dim: str = "time",
    dim_chunksize: dict = None,
) -> dict:
    """
    Encoding dictionary for the time dimension and all variables of a stacked grid.

    Parameters:
        ds (xr.Dataset): Dataset from ``GridStack.to_dataset()``.
        append_dim (str): The dimension (e.g., 'time') stacked layers are appended along.
        dim_chunksize (dict, optional): Custom chunk sizes for dimensions. If None,
            one layer per chunk and full ``y``/``x`` extents.

    Returns:
        dict: Dictionary suitable for use in xarray's `to_zarr`.
    """
    if dim_chunksize is None:
        dim_chunksize = {}

    encoding = {}
    if append_dim in ds.coords:
        encoding[append_dim] = {
            "units": "nanoseconds since 1950-01-01T00:00:00.00",
            "dtype": "int64",
            "_FillValue": -9999,
            "chunks": (dim_chunksize.get(append_dim, 1_000_000),),
        }

    for var_name, var in ds.data_vars.items():
        chunks = tuple(
            dim_chunksize.get(dim, 1 if dim == append_dim else var.sizes[dim])
            for dim in var.dims
        )
        if var.dtype.kind == "b":
            encoding[var_name] = {"chunks": chunks}
        elif var.dtype.kind == "f":
            encoding[var_name] = {
                "dtype": "float32",
                "chunks": chunks,
                "_FillValue": -999.0,
            }
        else:
            encoding[var_name] = {
                "dtype": var.dtype,
                "chunks": chunks,
                "_FillValue": -9999,
            }
    return encoding
