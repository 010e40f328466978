import numpy as np


def format_matrix(matrix: np.ndarray, max_size: int = 12, precision: int = 4) -> str:
    """
    Format a 1D or 2D array as a bordered table string with truncation.

    Parameters
    ----------
    matrix : np.ndarray
        Input array to format. 1D arrays are shown as a single row.
    max_size : int, optional
        Maximum number of rows/columns to show, by default 12
    precision : int, optional
        Digits after the decimal point, by default 4

    Returns
    -------
    str
        The formatted table.
    """
    matrix = np.atleast_2d(np.asarray(matrix, dtype=float))
    nrows, ncols = matrix.shape
    if nrows == 0 or ncols == 0:
        return "[]"
    cell_width = precision + 8
    ellipsis_str = f"{'...':^{cell_width}}"

    def trunc_indices(total: int):
        if total <= max_size:
            return list(range(total)), []
        n_head = max_size // 2
        n_tail = max_size - n_head - 1
        return list(range(n_head)) + list(range(total - n_tail, total)), [n_head]

    row_idx, row_cuts = trunc_indices(nrows)
    col_idx, col_cuts = trunc_indices(ncols)
    truncated = matrix[np.ix_(row_idx, col_idx)]

    formatted = []
    for i, row in enumerate(truncated):
        if i in row_cuts:
            formatted.append([ellipsis_str] * (len(col_idx) + len(col_cuts)))
        formatted_row = []
        for j, val in enumerate(row):
            if j in col_cuts:
                formatted_row.append(ellipsis_str)
            formatted_row.append(
                f"{val:{cell_width}.{precision}e}" if abs(val) > 1e-14 else f"{0:{cell_width}d}"
            )
        formatted.append(formatted_row)

    ncols_final = len(formatted[0])
    border = "+" + "+".join(["-" * (cell_width + 2)] * ncols_final) + "+"
    table_lines = [border]
    for row in formatted:
        table_lines.append("| " + " | ".join(row) + " |")
    table_lines.append(border)
    return "\n".join(table_lines)


def print_matrix(matrix: np.ndarray, max_size: int = 12) -> None:
    """Print a 1D or 2D array as a bordered table."""
    print(format_matrix(matrix, max_size=max_size))
