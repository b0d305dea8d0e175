from .summary_tables import parameter_table, posterior_table, write_table

__all__ = ["parameter_table", "posterior_table", "write_table"]
