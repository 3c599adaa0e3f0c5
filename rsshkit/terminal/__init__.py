"""VT100 line-editing terminal, key decoding, command-line parsing and tab completion."""