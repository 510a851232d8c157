import socket

DEFAULT_PORT = 5000
MAX_PORT_SEARCH = 5  # tries 5000, 5001, ... 5004


def port_is_free(port, host='0.0.0.0'):
    """True when the port can be bound; any bind failure (in use, privileged) counts as taken."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
    except OSError:
        return False
    finally:
        sock.close()
    return True


def find_available_port(start_port=DEFAULT_PORT, attempts=MAX_PORT_SEARCH, host='0.0.0.0'):
    """First port in [start_port, start_port + attempts) that can be bound."""
    for port in range(start_port, start_port + attempts):
        if port_is_free(port, host):
            return port
    raise RuntimeError('No available ports found')
