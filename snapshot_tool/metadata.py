# Crossref snapshot records carry the DOI under "DOI", DataCite records under "doi".
DOI_KEYS = ('DOI', 'doi')


def get_doi_from_record(record):
    if not isinstance(record, dict):
        return None
    for key in DOI_KEYS:
        doi = record.get(key)
        if isinstance(doi, str):
            return doi
    return None
