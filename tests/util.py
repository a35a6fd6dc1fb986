import io

from openpyxl import Workbook

from calificaciones.modelos import Materia, Nota, RegistroEstudiante, VACIA


def fila_estudiante(nombre, p1=None, c1=None, p2=None, c2=None, final=None):
    fila = [None] * 23
    fila[0] = 1
    fila[1] = nombre
    fila[8] = p1
    fila[9] = c1
    fila[16] = p2
    fila[17] = c2
    fila[22] = final
    return fila


def filas_planilla(anio="3", seccion="2", estudiantes=(), pie=True):
    """Filas de una hoja con la disposición oficial: curso en la fila 7, datos desde la 11."""
    filas = [[None] for _ in range(6)]
    datos_curso = [None, None, None]
    if anio is not None:
        datos_curso[1] = f"AÑO: {anio}"
    if seccion is not None:
        datos_curso[2] = f"SECCIÓN: {seccion}"
    filas.append(datos_curso)
    filas.append([None, "APELLIDO Y NOMBRE"])
    filas.append([None, None, None, None, None, None, None, None, "1º VALORACIÓN PRELIMINAR"])
    filas.append([None])
    filas.extend(estudiantes)
    if pie:
        filas.append([None, "TOTAL DE ESTUDIANTES", 3])
        filas.append([None, "Aprobadas/os"])
        filas.append([None, "CLASES EFECTIVAMENTE DADAS"])
    return filas


def crear_libro(hojas, formatos=None):
    """
    hojas: {nombre_hoja: filas}. formatos: {nombre_hoja: {(fila, columna): number_format}}
    con índices base 0. Devuelve los bytes de un .xlsx.
    """
    formatos = formatos or {}
    libro = Workbook()
    libro.remove(libro.active)
    for nombre, filas in hojas.items():
        hoja = libro.create_sheet(title=nombre)
        for i, fila in enumerate(filas, start=1):
            for j, valor in enumerate(fila, start=1):
                if valor is not None:
                    hoja.cell(row=i, column=j, value=valor)
        for (fila, columna), formato in formatos.get(nombre, {}).items():
            hoja.cell(row=fila + 1, column=columna + 1).number_format = formato
    buffer = io.BytesIO()
    libro.save(buffer)
    return buffer.getvalue()


class ArchivoSubido(io.BytesIO):
    """Imita el UploadedFile de Streamlit (bytes + .name)."""

    def __init__(self, nombre, datos):
        super().__init__(datos)
        self.name = nombre


def nota(valor):
    if valor is None:
        return VACIA
    if isinstance(valor, str):
        return Nota(valor)
    return Nota(float(valor))


def estudiante(nombre, p1=None, c1=None, p2=None, c2=None, final=None):
    return RegistroEstudiante(
        nombre=nombre,
        preliminar1=nota(p1),
        cuatrimestre1=nota(c1),
        preliminar2=nota(p2),
        cuatrimestre2=nota(c2),
        final=nota(final),
    )


def materia(nombre, curso, estudiantes, anio="", seccion=""):
    return Materia(nombre=nombre, curso=curso, anio=anio, seccion=seccion, estudiantes=list(estudiantes))
