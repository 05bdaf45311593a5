def success(message, **data):
    return {"success": True, "message": message, **data}


def error(message, **data):
    return {"success": False, "message": message, **data}
