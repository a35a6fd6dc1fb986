import pandas as pd


# Disposición fija de las planillas (índices base 0)
FILA_DATOS_CURSO = 6
FILA_INICIO_ESTUDIANTES = 10
COLUMNA_NOMBRE = 1
COLUMNAS_NOTAS = {
    "preliminar1": 8,
    "cuatrimestre1": 9,
    "preliminar2": 16,
    "cuatrimestre2": 17,
    "final": 22,
}

MARCADOR_ANIO = "AÑO:"
MARCADOR_SECCION = "SECCIÓN:"

# Filas de pie/resumen que no son estudiantes
TITULOS_EXCLUIDOS = [
    "TOTAL DE ESTUDIANTES",
    "APROBADAS/OS",
    "DESAPROBADAS/OS",
    "SIN EVALUAR",
    "TOTAL DE CLASES DE LA MATERIA",
    "CLASES EFECTIVAMENTE DADAS",
    "VALORACIÓN",
    "CALIFICACIÓN",
]

# Materias que se promedian en el TALLER (comparación sin acentos, minúsculas)
MATERIAS_TALLER = ["lenguajes tecnologicos", "sistemas tecnologicos", "procedimientos tecnicos"]
NOMBRE_TALLER = "TALLER - General"

SIN_CURSO = "Sin curso"

NOTA_APROBACION = 7
CODIGOS_APROBADO = ["TEA"]
CODIGOS_DESAPROBADO = ["TEP", "TED"]

MENSAJE_ERROR_CARGA = "Error al procesar los archivos Excel. Verifique el formato."
MENSAJE_ERROR_EXPORTACION = "Error al exportar el archivo. Por favor, intente nuevamente."
MENSAJE_MINIMO_INVALIDO = "Por favor, ingrese un número válido para el mínimo de materias desaprobadas."

# Encabezados de exportación
COLUMNAS_EXPORTACION = {
    "preliminar1": "1º Val. Preliminar",
    "cuatrimestre1": "1º Cuatrimestre",
    "preliminar2": "2º Val. Preliminar",
    "cuatrimestre2": "2º Cuatrimestre",
    "final": "Calificación Final",
}

PREFIJOS_ESTADISTICAS = {
    "preliminar1": "1º Prelim",
    "cuatrimestre1": "1º Cuatr",
    "preliminar2": "2º Prelim",
    "cuatrimestre2": "2º Cuatr",
    "final": "Final",
}

ETIQUETAS_TIPO_NOTA = {
    "preliminar1": "1º Valoración Preliminar",
    "cuatrimestre1": "Calificación 1º Cuatrimestre",
    "preliminar2": "2º Valoración Preliminar",
    "cuatrimestre2": "Calificación 2º Cuatrimestre",
    "final": "Calificación Final",
}


def tabla_tipos_nota():
    """Tabla de tipos de calificación (valor interno → etiqueta visible)."""
    datos = [{"valor": v, "etiqueta": e} for v, e in ETIQUETAS_TIPO_NOTA.items()]
    return pd.DataFrame(datos, columns=["valor", "etiqueta"])
