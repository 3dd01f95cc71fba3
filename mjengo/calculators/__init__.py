"""
Construction-cost calculators.

Pure arithmetic over form input — concrete, walling, plaster, excavation.
Only invoked after the access check allows the request.
"""
