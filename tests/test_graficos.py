from calificaciones.estadisticas import estadisticas_por_curso, resumen_por_tipo
from calificaciones.filtros import filtrar_datos
from calificaciones.graficos import grafico_aprobacion_por_curso, grafico_aprobacion_por_tipo
from calificaciones.modelos import EstadoFiltros

from util import estudiante, materia


def _resultado():
    return filtrar_datos([
        materia("Matemática", "3 2", [estudiante("Ana Díaz", final=8), estudiante("Luis Gómez", final=4)]),
    ], EstadoFiltros())


def test_grafico_por_tipo():
    grafico = grafico_aprobacion_por_tipo(resumen_por_tipo(_resultado()))
    vega = grafico.to_dict()
    assert vega["mark"]["type"] == "bar"
    assert vega["encoding"]["color"]["field"] == "Estado"


def test_grafico_por_tipo_sin_datos():
    vacio = filtrar_datos([], EstadoFiltros())
    vega = grafico_aprobacion_por_tipo(resumen_por_tipo(vacio)).to_dict()
    assert vega["mark"]["type"] == "text"


def test_grafico_por_curso():
    filtros = EstadoFiltros()
    resultado = _resultado()
    vega = grafico_aprobacion_por_curso(estadisticas_por_curso(resultado, filtros)).to_dict()
    assert vega["mark"]["type"] == "bar"
    assert vega["encoding"]["x"]["field"] == "Curso"


def test_grafico_por_curso_sin_datos():
    assert grafico_aprobacion_por_curso([]).to_dict()["mark"]["type"] == "text"
