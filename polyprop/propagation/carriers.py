""" Carrier types shipped with polyprop.

    Any class can serve as a carrier category; these are the ones the
    standard propagators are registered for.
"""


class HTTPHeaders(dict):
    """ A header map carrying the W3C ``traceparent`` header.

        Being a dict, it falls back to the text-map codec on tracers that did
        not call register_standard_propagators().
    """
