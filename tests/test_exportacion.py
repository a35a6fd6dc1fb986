import io

import pandas as pd
import pytest
from openpyxl import load_workbook

from calificaciones.config import MENSAJE_MINIMO_INVALIDO, NOMBRE_TALLER
from calificaciones.errores import ErrorExportacion, ErrorMinimoInvalido
from calificaciones.exportacion import (
    COLUMNAS_CALIFICACIONES,
    a_excel,
    exportar_calificaciones,
    exportar_desaprobados,
    exportar_detalle_materias,
    exportar_estadisticas,
    exportar_estudiante,
    exportar_matriz,
    sufijo_archivo,
    valor_exportable,
    vista_materia,
)
from calificaciones.filtros import filtrar_datos
from calificaciones.modelos import EstadoFiltros, Nota, TipoNota, VACIA
from calificaciones.procesamiento import derivar_taller

from util import estudiante, materia


def _datos():
    return derivar_taller([
        materia("Matemática", "3 2", [
            estudiante("Ana Díaz", p1="TEA", c1=6.5, final=4),
            estudiante("Luis Gómez", final=8),
        ]),
        materia("Historia", "3 2", [
            estudiante("Ana Díaz", final=5),
            estudiante("Luis Gómez", final=0),
        ]),
        materia("Lenguajes Tecnológicos", "3 2", [estudiante("Ana Díaz", c1=8, c2=6)]),
        materia("Lengua", "4 1", [estudiante("Eva Ruiz", final=9)]),
    ])


def test_valor_exportable():
    assert valor_exportable(Nota(8.0)) == 8
    assert isinstance(valor_exportable(Nota(8.0)), int)
    assert valor_exportable(Nota(6.5)) == 6.5
    assert valor_exportable(Nota("TEA")) == "TEA"
    assert valor_exportable(Nota(0.0)) == ""
    assert valor_exportable(VACIA) == ""


def test_sufijo_archivo():
    assert sufijo_archivo(" Ana  Díaz ") == "Ana_Díaz"


def test_exportar_estudiante_sin_materias_de_taller():
    # given
    datos = _datos()

    # when
    df = exportar_estudiante(datos, "Ana Díaz", EstadoFiltros())

    # then
    assert list(df.columns) == COLUMNAS_CALIFICACIONES
    assert list(df["Materia"]) == ["Matemática", "Historia", NOMBRE_TALLER]
    fila = df.iloc[0]
    assert fila["1º Val. Preliminar"] == "TEA"
    assert fila["1º Cuatrimestre"] == 6.5
    assert fila["Calificación Final"] == 4
    assert fila["2º Cuatrimestre"] == ""


def test_exportar_calificaciones_respeta_busqueda_de_estudiante():
    # given
    filtros = EstadoFiltros(buscar_estudiante="gomez")
    resultado = filtrar_datos(_datos(), filtros)

    # when
    df = exportar_calificaciones(resultado, filtros)

    # then
    assert set(df["Estudiante"]) == {"Luis Gómez"}
    assert list(df["Materia"]) == ["Matemática", "Historia"]
    assert list(df["Calificación Final"]) == [8, ""]


def test_exportar_estadisticas():
    # given
    filtros = EstadoFiltros()
    datos = _datos()
    resultado = filtrar_datos(datos, filtros)

    # when
    df = exportar_estadisticas(datos, resultado, filtros).set_index("Estudiante")

    # then
    assert df.columns[0] == "1º Prelim - Total"
    assert df.loc["Ana Díaz", "Final - Total"] == 3
    assert df.loc["Ana Díaz", "Final - Desaprobó"] == 2
    assert df.loc["Ana Díaz", "1º Prelim - Aprobó"] == 1
    assert df.loc["Luis Gómez", "Final - Total"] == 1


def test_exportar_desaprobados():
    # given
    filtros = EstadoFiltros(minimo_desaprobadas="2")
    datos = _datos()
    resultado = filtrar_datos(datos, filtros)

    # when
    df = exportar_desaprobados(datos, resultado, filtros)

    # then
    assert list(df.columns) == [
        "Estudiante",
        "Materias Desaprobadas (Calificación Final)",
        "Total Materias Evaluadas (Calificación Final)",
        "Promedio Final (General)",
        "Cursos",
    ]
    assert len(df) == 1
    fila = df.iloc[0]
    assert fila["Estudiante"] == "Ana Díaz"
    assert fila["Materias Desaprobadas (Calificación Final)"] == 2
    assert fila["Promedio Final (General)"] == "5.3"  # (4 + 5 + 7) / 3
    assert fila["Cursos"] == "3 2"


@pytest.mark.parametrize("minimo", ["", "abc", "0", "-1"])
def test_exportar_desaprobados_sin_minimo_valido(minimo):
    filtros = EstadoFiltros(minimo_desaprobadas=minimo)
    datos = _datos()
    with pytest.raises(ErrorMinimoInvalido) as exc:
        exportar_desaprobados(datos, filtrar_datos(datos, filtros), filtros)
    assert str(exc.value) == MENSAJE_MINIMO_INVALIDO


def test_exportar_detalle_materias_formatea_la_tasa():
    # given
    resultado = filtrar_datos(_datos(), EstadoFiltros())

    # when
    df = exportar_detalle_materias(resultado, TipoNota.FINAL).set_index("Materia")

    # then
    assert df.loc["Matemática", "Tasa de Aprobación"] == "50.0%"
    assert df.loc["Lengua", "Tasa de Aprobación"] == "100.0%"


def test_exportar_matriz():
    # given
    resultado = filtrar_datos(_datos(), EstadoFiltros())

    # when
    df = exportar_matriz(resultado, TipoNota.FINAL)

    # then
    assert list(df.columns) == ["Estudiante", "Matemática", "Historia", "Lengua", NOMBRE_TALLER]
    assert df.iloc[0]["Estudiante"].startswith("NOTA:")
    assert df.iloc[0]["Matemática"] == "Formato: Nota (Estado)"
    cuerpo = df.iloc[1:].set_index("Estudiante")
    assert list(cuerpo.index) == ["Ana Díaz", "Eva Ruiz", "Luis Gómez"]
    assert cuerpo.loc["Ana Díaz", "Matemática"] == "4 (DESAPROBADO)"
    assert cuerpo.loc["Ana Díaz", "Lengua"] == "N/A (N/A)"
    assert cuerpo.loc["Luis Gómez", "Historia"] == "0 (N/A)"
    assert cuerpo.loc["Ana Díaz", NOMBRE_TALLER] == "7 (APROBADO)"


def test_vista_materia():
    # given
    m = _datos()[0]

    # when
    df = vista_materia(m, [TipoNota.PRELIMINAR1, TipoNota.FINAL], EstadoFiltros())

    # then
    assert list(df.columns) == [
        "Estudiante",
        "1º Valoración Preliminar",
        "Estado (1º Valoración Preliminar)",
        "Calificación Final",
        "Estado (Calificación Final)",
    ]
    assert list(df.iloc[0]) == ["Ana Díaz", "TEA", "APROBADO", "4", "DESAPROBADO"]
    assert list(df.iloc[1]) == ["Luis Gómez", "N/A", "N/A", "8", "APROBADO"]


def test_a_excel_genera_un_libro_legible():
    # given
    df = pd.DataFrame([{"Estudiante": "Ana Díaz", "Calificación Final": 8}])

    # when
    datos = a_excel(df, hoja="Calificaciones")

    # then
    libro = load_workbook(io.BytesIO(datos))
    hoja = libro["Calificaciones"]
    assert [c.value for c in hoja[1]] == ["Estudiante", "Calificación Final"]
    assert [c.value for c in hoja[2]] == ["Ana Díaz", 8]


def test_a_excel_recorta_nombre_de_hoja():
    datos = a_excel(pd.DataFrame({"a": [1]}), hoja="x" * 40)
    assert load_workbook(io.BytesIO(datos)).sheetnames == ["x" * 31]


def test_minimo_invalido_es_un_error_de_exportacion():
    assert issubclass(ErrorMinimoInvalido, ErrorExportacion)


def test_a_excel_envuelve_fallos_de_escritura():
    # given
    df = pd.DataFrame({"a": [1]})

    # when / then
    with pytest.raises(ErrorExportacion) as exc:
        a_excel(df, hoja="[inválida]")
    assert not isinstance(exc.value, ErrorMinimoInvalido)
