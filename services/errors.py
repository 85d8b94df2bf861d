"""Domain errors shared by the routes and services.

Every error knows the HTTP status it maps to, the message shown to the
client and optional ``details`` (upstream diagnostics, never credentials).
"""


class ServiceError(Exception):
    status_code = 500
    default_message = 'Error interno del servidor.'

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        body = {'error': self.message}
        if self.details:
            body['details'] = self.details
        return body


class ClientInputError(ServiceError):
    status_code = 400
    default_message = 'Solicitud inválida.'


class MissingFieldError(ClientInputError):
    default_message = 'Faltan datos de resultados para guardar.'

    def __init__(self, fields, message=None):
        self.fields = list(fields)
        super().__init__(message, details=f"Campos faltantes: {', '.join(self.fields)}")


class NoMaterialError(ClientInputError):
    default_message = 'No se proporcionó un archivo bajo la clave "file".'


class FileTooLargeError(ClientInputError):
    status_code = 413
    default_message = 'El archivo supera el tamaño máximo permitido.'


class NotFoundError(ServiceError):
    status_code = 404
    default_message = 'Resultado de examen no encontrado.'


class UpstreamProviderError(ServiceError):
    status_code = 500
    default_message = 'Error al comunicarse con el proveedor externo.'


class OcrInsufficientTextError(UpstreamProviderError):
    default_message = 'OCR falló: No se pudo extraer suficiente texto (mínimo 50 caracteres).'

    def __init__(self, extracted_chars, min_chars, message=None):
        self.extracted_chars = extracted_chars
        self.min_chars = min_chars
        if message is None and min_chars != 50:
            message = f'OCR falló: No se pudo extraer suficiente texto (mínimo {min_chars} caracteres).'
        super().__init__(message, details=f'Caracteres extraídos: {extracted_chars}')


class ProviderCallError(UpstreamProviderError):
    default_message = 'Error al llamar al proveedor de IA.'

    def __init__(self, provider, details=None, message=None):
        self.provider = provider
        super().__init__(message, details=details)


class ProviderFormatError(UpstreamProviderError):
    default_message = 'El proveedor de IA devolvió un examen con formato inválido.'

    def __init__(self, details=None, raw_text=None, message=None):
        # Kept for server-side logs only, never sent to the client
        self.raw_text = raw_text
        super().__init__(message, details=details)


class StoreError(ServiceError):
    status_code = 500
    default_message = 'Error interno del servidor al guardar el resultado.'
