class ErrorCalificaciones(Exception):
    """Error base de la aplicación."""


class ErrorLecturaLibro(ErrorCalificaciones, ValueError):
    """No se pudo abrir un archivo como libro de Excel."""

    def __init__(self, nombre_archivo: str, causa: str = ""):
        self.nombre_archivo = nombre_archivo
        mensaje = f"No se pudo leer el archivo '{nombre_archivo}'"
        if causa:
            mensaje += f": {causa}"
        super().__init__(mensaje)


class ErrorExportacion(ErrorCalificaciones):
    """Fallo al generar un archivo de exportación."""


class ErrorMinimoInvalido(ErrorExportacion):
    """Se pidió la lista de desaprobados sin un mínimo válido (> 0)."""
