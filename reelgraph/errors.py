class ReelgraphError(Exception):
    pass


class StructuralError(ReelgraphError):
    def __init__(
        self,
        message: str,
        layer_index: int | None = None,
        block_number: int | None = None,
    ):
        self.layer_index = layer_index
        self.block_number = block_number
        if layer_index is not None:
            message = f"Layer {layer_index}: {message}"
        elif block_number is not None:
            message = f"Subtitle block {block_number}: {message}"
        super().__init__(message)


class UnknownLayerError(StructuralError):
    def __init__(self, layer_index: int, layer: object):
        self.layer = layer
        super().__init__(
            f"unrecognized layer variant {type(layer).__name__}",
            layer_index=layer_index,
        )


class InvalidFilterError(StructuralError):
    def __init__(self, layer_index: int | None, filter_name: str, reason: str):
        self.filter_name = filter_name
        super().__init__(f"filter '{filter_name}' {reason}", layer_index=layer_index)
